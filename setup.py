"""
setup.py for the mpcloop Python package.

The package sources live under python/; install from the repository root:
    pip install -e .

With test and lint tooling:
    pip install -e ".[dev]"
"""

from setuptools import find_packages, setup

setup(
    name="mpcloop",
    version="0.1.0",
    description="Receding-horizon MPC loop manager around trajectory optimizers",
    package_dir={"": "python"},
    packages=find_packages("python"),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.20",
        "scipy>=1.7",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
            "hypothesis>=6.0",
            "black>=23.0",
            "ruff>=0.1.0",
            "mypy>=1.0",
        ],
    },
)
