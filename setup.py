"""
Setup script for the Content Approval Desk
"""
from setuptools import setup, find_packages

setup(
    name="content-approval-desk",
    version="0.1.0",
    packages=find_packages(include=["apps", "apps.*"], exclude=["*.tests", "*.tests.*"]),
    install_requires=[
        "fastapi>=0.115.0",
        "uvicorn>=0.30.0",
        "pydantic>=2.8.0",
        "python-dotenv>=1.0.1",
        "httpx>=0.27.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0.0",
            "pytest-asyncio>=0.23.0",
        ],
    },
    description="Content Approval Desk - review queues from Google Sheets, decisions to n8n",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
