"""
Setup script for assessment-engine.

The assessment engine runs diagnostic and mock test sessions against a
question bank:

1. Diagnostic - short, sequential, concept-diverse selection
2. Mock test - full-length, freely navigable, hard time budget
3. Report - finished-attempt summaries behind an opaque token

The 'assessment' command is the CLI entry point; the HTTP API is served by
uvicorn ('assessment serve' or 'python main.py').
"""

from setuptools import find_packages, setup

setup(
    name="assessment-engine",
    version="1.0.0",
    description="Assessment session engine: question selection, timed attempts and reports",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(include=["assessment", "assessment.*"]),
    py_modules=["config", "main"],
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # API
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
        # Database
        "sqlalchemy>=2.0.0,<2.1",
        "psycopg2-binary>=2.9.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # HTTP (TestClient transport)
        "httpx>=0.25.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "assessment=assessment.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Web Environment",
        "Framework :: FastAPI",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education :: Testing",
    ],
    keywords="assessment diagnostic mock-test exam education",
)
