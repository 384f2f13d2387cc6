from setuptools import setup, find_packages

setup(
    name="facehire",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"facehire": ["data/*.csv"]},
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.104.0",
        "uvicorn>=0.24.0",
        "python-dotenv>=1.0.0",
        "pydantic>=2.4.2",
        "pydantic-settings>=2.0.3",
        "structlog>=23.2.0",
        "numpy>=1.24.0",
        "opencv-python>=4.8.0,<5",
        "openai>=1.3.0",
        "pandas>=2.0.0",
        "SQLAlchemy[asyncio]>=2.0.0",
        "aiosqlite>=0.19.0",
        "pypdf>=3.17.0",
        "python-multipart>=0.0.6",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "httpx>=0.25.0",
        ],
    },
)
