from setuptools import setup, find_packages

setup(
    name="catalog-api",
    version="0.1.0",
    packages=find_packages(include=["catalog", "catalog.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "pydantic>=2.6",
        "pydantic-settings>=2.7",
        "sqlalchemy[asyncio]>=2.0",
        "asyncpg>=0.29",
        "redis>=5.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "httpx>=0.27",
            "aiosqlite>=0.20",
        ],
    },
)
