"""
Setup configuration for adcompliance package.
"""

from setuptools import setup, find_packages

setup(
    name="adcompliance",
    version="0.1.0",
    description="Ad creative and landing page compliance analysis engine",
    packages=find_packages(include=["adcompliance", "adcompliance.*"]),
    python_requires=">=3.9",
    install_requires=[
        # Keep in sync with requirements.txt
        "pydantic>=2.5",
        "pydantic-ai>=0.4,<2",
        "pydantic-graph>=0.4,<2",
        "supabase>=2.0",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "logfire>=2.0",
        "google-genai>=1.0",
        "click>=8.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "adcompliance=adcompliance.cli.main:cli",
        ],
    },
)
