"""
Setup script for subsidence_age_model package
"""

from setuptools import setup, find_packages
from pathlib import Path

# Long description from the design notes
readme_file = Path(__file__).parent / "DESIGN.md"
if readme_file.exists():
    long_description = readme_file.read_text(encoding='utf-8')
else:
    long_description = "Bayesian thermal-subsidence age-height models for stratigraphic sections"

setup(
    name="subsidence_age_model",
    version="0.1.0",
    description="Bootstrap Bayesian calibration of thermal-subsidence age-height models",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Subsidence Age Model Project",
    packages=find_packages(include=["subsidence_age_model", "subsidence_age_model.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.20",
        "pandas>=1.3",
        "matplotlib>=3.4",
        "scipy>=1.7",
        "arviz>=0.12,<1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    keywords="stratigraphy geochronology thermal-subsidence bayesian age-model",
)
