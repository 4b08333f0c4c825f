from setuptools import setup, find_packages

setup(
    name="cxxbind",
    version="0.1.0",
    description="Generate Python ctypes bindings from C/C++ headers with pluggable library transforms",
    author="Your Name",
    packages=find_packages(include=["cxxbind", "cxxbind.*"]),
    python_requires=">=3.9",
    install_requires=[
        "click>=8.0.0",
        "pyyaml>=6.0",
        "tqdm>=4.65.0",
        "tree-sitter>=0.22.0",
        "tree-sitter-cpp>=0.22.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=22.0.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "cxxbind=cxxbind.cli:main",
        ],
    },
)
