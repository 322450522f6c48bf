# setup.py
from setuptools import setup, find_packages

setup(
    name="budgetbuddy",
    version="0.1.0",
    description="Budget tracking, threshold alerts and bank SMS parsing for personal finances",
    author="Your Name",
    author_email="you@example.com",
    url="https://github.com/yourusername/budgetbuddy",
    packages=find_packages(include=["budget_tracker", "budget_tracker.*"]),
    python_requires=">=3.10",
    install_requires=[
        "click>=7.0",
        "pyyaml>=5.3",
        "pandas>=1.1",
        "anyio>=3.0",
        "python-dotenv>=0.19",
        "mcp>=1.0,<2",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "budgetbuddy=budget_tracker.cli:main",
            "budgetbuddy-mcp=budget_tracker.mcp_server:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
