"""
Setup script for the Cost Analytics Engine package.
"""
from setuptools import setup, find_packages
from pathlib import Path

# Read README
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text()

# Read requirements
requirements = (this_directory / "requirements.txt").read_text().strip().split('\n')

setup(
    name="cost-analytics-engine",
    version="1.0.0",
    author="Cloud Cost Analytics Team",
    author_email="nggocnn@example.com",
    description="Cost trends, anomalies, forecasts and savings recommendations from cloud billing data",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/nggocnn/cost-analytics-engine",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: System :: Systems Administration",
        "Topic :: Office/Business :: Financial",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    include_package_data=True,
    package_data={
        "cost_analytics": ["py.typed"],
    },
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "black>=22.0.0",
            "isort>=5.10.0",
            "flake8>=4.0.0",
            "mypy>=0.991",
        ],
    },
    keywords="azure cost analytics anomaly forecast cloud finops",
    project_urls={
        "Bug Reports": "https://github.com/nggocnn/cost-analytics-engine/issues",
        "Source": "https://github.com/nggocnn/cost-analytics-engine",
        "Documentation": "https://github.com/nggocnn/cost-analytics-engine/blob/main/README.md",
    },
)
