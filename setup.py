"""
Setup script for geodrape package
Projective image draping over draggable geographic corners
"""
from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

setup(
    name="geodrape",
    version="0.1.0",
    description="Homography-based draping of raster images onto four geographic corners of an interactive map",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: GIS",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    package_dir={"": "src"},
    packages=find_packages(where="src", exclude=["*.tests", "*.tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        # Core scientific stack
        "numpy>=1.20",
        # Geospatial
        "shapely>=1.7,<3.0",
        "affine>=2.4,<3.0",
        "pyproj>=3.0,<4.0",
        # Imaging
        "pillow>=9.0",
    ],
    extras_require={
        "dev": [
            "black>=22.0",
            "isort>=5.0",
            "pytest>=7.0",
            "pytest-cov>=3.0",
        ],
        "test": [
            "pytest>=7.0",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
