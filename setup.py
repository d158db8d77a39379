# -*- coding: utf-8 -*-

# system imports
from setuptools import setup, find_packages  # type: ignore


# proceed with actual install
install_requires = [
    "click>=8.0.0",
    "packaging",
    "rich>=10.0",
]

dev_requires = [
    "black",
    "flake8",
    "mypy",
    "pytest",
    "pytest-cov",
]

test_requires = [
    "pytest",
]

setup(
    name="stepsql",
    version="1.0.0",
    description="Typed, resource-safe Python objects over the SQLite C library.",
    license="MIT",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages("src"),
    package_dir={"": "src"},
    package_data={
        "stepsql": ["py.typed"],
    },
    install_requires=install_requires,
    extras_require={
        "dev": dev_requires,
        "test": test_requires,
    },
    zip_safe=False,
    entry_points={
        "console_scripts": ["stepsql=stepsql.cli:main"],
    },
    python_requires=">=3.8",
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Operating System :: Unix",
        "Operating System :: MacOS",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",
        "Topic :: Database",
    ],
)
