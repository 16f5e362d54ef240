# setup.py

from setuptools import setup, find_namespace_packages

setup(
    name="amm-settlement",
    version="1.0.0",
    description="Exact-integer constant-product AMM settlement engine with a Mesa simulation shell",
    author="AMM-Settlement contributors",
    license="MIT",
    packages=find_namespace_packages(where="src", include=["amm_settlement*"]),
    package_dir={"": "src"},
    install_requires=[
        "mesa>=3.0.0",
        "pandas>=1.0.0",
        "numpy>=1.18.0",
        "matplotlib>=3.0.0",
        "PyYAML>=5.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
)
