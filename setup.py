"""
Setup script for mixmind-scheduler.

MixMind is the adaptive lesson scheduler behind a cocktail-learning app:

1. Placement - onboarding survey to level, track, spirits and start module
2. Scheduling - time-boxed sessions interleaving new, review and older items
3. Progress - bounded mastery updates, XP, streaks and badges

The 'mixmind' command is the entry point.
"""

from setuptools import find_packages, setup

setup(
    name="mixmind-scheduler",
    version="1.0.0",
    description="Adaptive lesson scheduler and placement engine for cocktail lessons",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="MixMind",
    packages=find_packages(include=["mixmind", "mixmind.*"]),
    py_modules=["config"],
    package_data={"mixmind.content": ["data/*.json"]},
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
        "psycopg2-binary>=2.9.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # HTTP
        "httpx>=0.25.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "mixmind=mixmind.cli.main:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition interleaving scheduler education",
)
