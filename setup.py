"""Setup pour Habilitations Tracker."""

from setuptools import setup, find_namespace_packages

setup(
    name="habilitations_tracker",
    version="1.0.0",
    description="Suivi des habilitations electriques du personnel d'exploitation",
    author="AJ",
    python_requires=">=3.10",
    packages=find_namespace_packages(include=["habilitations_tracker*"]),
    entry_points={
        "console_scripts": [
            "habilitations-tracker=habilitations_tracker.main:main",
        ],
    },
    install_requires=[
        "pydantic>=2.0",
        "openpyxl>=3.1.0",
        "fastapi>=0.100.0",
        "python-multipart>=0.0.6",
    ],
    extras_require={
        "serveur": [
            "uvicorn>=0.23.0",
            "gunicorn>=21.2.0",
        ],
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "httpx>=0.24.0",
        ],
    },
)
