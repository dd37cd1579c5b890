"""
Setup script for package installation
"""
from setuptools import setup, find_packages

setup(
    name="fyw_pay",
    version="0.1.0",
    description="Final Year Week registration and payment reconciliation API",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10,<3.14",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn[standard]>=0.27",
        "sqlalchemy>=2.0",
        "psycopg2-binary>=2.9",
        "alembic>=1.13",
        "pydantic>=2.5",
        "email-validator>=2.0",
        "python-dotenv>=1.0",
        "httpx>=0.26",
        "python-jose[cryptography]>=3.3",
        "passlib>=1.7.4",
        "bcrypt>=4.0.1,<4.1",
        "segno>=1.5",
    ],
    extras_require={
        "s3": ["boto3>=1.34"],
        "test": ["pytest>=7.4"],
    },
)
