from setuptools import setup, find_namespace_packages

setup(
    name="marketplace-api",
    version="0.1.0",
    packages=find_namespace_packages(include=["src", "src.*"]),
    package_data={"src.marketplace.db": ["seed/*/*.json"]},
    install_requires=[
        "fastapi",
        "uvicorn",
        "sqlalchemy[asyncio]>=2.0",
        "asyncpg",
        "aiosqlite",
        "pydantic[email]>=2.0",
        "pydantic-settings",
        "python-dotenv",
        "python-jose[cryptography]",
        "passlib[bcrypt]",
        "bcrypt>=4.0,<5",
        "python-multipart",
        "pyyaml",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx",
        ],
    },
)
