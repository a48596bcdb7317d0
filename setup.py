"""
TableVec - Embedding-aware tables.

Vector columns derived from source columns by named embedding functions.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""

setup(
    name="tablevec",
    version="0.1.0",
    author="TableVec Team",
    author_email="",
    description="Embedding-aware tables: vector columns computed from source columns by named embedding functions.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "Topic :: Database :: Database Engines/Servers",
    ],
    python_requires=">=3.9",
    install_requires=[
        "pyarrow>=12.0.0",
        "numpy>=1.24.0",
        "openai>=1.0.0",
        "python-dotenv>=1.0.0",
        "pyyaml>=6.0.0",
    ],
    extras_require={
        "sentence-transformers": [
            "sentence-transformers>=2.2.0",
        ],
        "dev": [
            "pytest>=8.0.0",
            "pytest-asyncio>=0.21.0",
            "black>=23.0.0",
            "ruff>=0.1.0",
        ],
        "all": [
            "sentence-transformers>=2.2.0",
            "pytest>=8.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    include_package_data=True,
    keywords=[
        "embeddings",
        "vector-database",
        "arrow",
        "columnar",
        "semantic-search",
        "openai",
        "sentence-transformers",
        "machine-learning",
    ],
)
