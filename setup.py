from setuptools import setup, find_packages

setup(
    name="artct",
    version="0.3.0",
    description="Algebraic Reconstruction Technique (ART) for parallel-beam CT with Numba CPU and CUDA backends",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=("tests", "tests.*", "examples", "examples.*")),
    install_requires=[
        "numpy",
        "numba",
        "torch",
    ],
    extras_require={
        "yaml": ["pyyaml"],
        "test": ["pytest"],
        "examples": ["matplotlib"],
    },
    entry_points={
        "console_scripts": [
            "artct-recon=artct.cli:main",
        ],
    },
    license="Apache 2.0",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Topic :: Scientific/Engineering :: Medical Science Apps.",
    ],
    python_requires=">=3.10",
)
