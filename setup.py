from setuptools import setup, find_packages

setup(
    name="cwtkit",
    version="1.0.0",
    description="A Python package for Discrete Fourier Transform and Morlet continuous wavelet transform (CWT) analysis.",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "numpy>=1.21.0",
        "scipy>=1.7.0",
        "pandas>=1.3.0",
        "matplotlib>=3.4.0",
    ],
    extras_require={
        "fftw": ["pyfftw>=0.12.0"],
        "test": ["pytest>=7.0"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
)
