"""Setup configuration for wikisage - memory plus Wikipedia question answering"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="wikisage",
    version="0.1.0",
    author="wikisage contributors",
    description="Question answering over a local TF-IDF memory with live Wikipedia lookups",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["wikisage", "wikisage.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
    install_requires=[
        "requests>=2.31.0",
        "numpy>=1.24.0",
        "colorama>=0.4.6",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "wikisage=wikisage.cli:main",
        ],
    },
)
