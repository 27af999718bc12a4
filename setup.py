"""
pkgvault setup.py — Package configuration and CLI entry point.
"""

from setuptools import find_packages, setup

setup(
    name="pkgvault",
    version="1.0.0",
    description="pkgvault — Packages, binary artifacts and zip archives over HTTP",
    packages=find_packages(include=["pkgvault", "pkgvault.*"]),
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "pkgvault=pkgvault.cli:main",
        ],
    },
    install_requires=[
        "fastapi>=0.110",
        "uvicorn>=0.29",
        "python-multipart>=0.0.9",
        "sqlalchemy>=2.0",
        "psycopg2-binary>=2.9",
        "pydantic>=2.5",
        "bcrypt>=4.1",
        "pyyaml>=6.0",
        "httpx>=0.27",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
        ],
    },
)
