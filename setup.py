"""Packaging information for icepersist."""

import sys

import setuptools

from icepersist.constants import VERSION

if sys.version_info[:3] < (3, 8, 0):
    print("icepersist requires Python 3.8 to run.")
    sys.exit(1)

install_requires = [
    "fsspec>=2022.5.0",
    "msgpack>=1.0.0",
    "fasteners>=0.15",
]

extras_require = {
    "dev": [
        "flake8>=3.7.9",
        "flake8-docstrings>=1.5.0",
        "flake8-import-order>=0.18.1",
        "black>=19.10b0",
        "mypy>=0.770",
        "pytest>=5.4.1",
        "pytest-cov>=2.8.1",
    ]
}


def _long_description():
    with open("README.md") as f:
        return f.read()


setuptools.setup(
    name="icepersist",
    version=VERSION,
    description="Persist key-value store objects on remote file systems like HDFS and S3.",
    long_description=_long_description(),
    long_description_content_type="text/markdown",
    license="Apache",
    packages=setuptools.find_packages(),
    entry_points={"console_scripts": ["icepersist = icepersist.__main__:main"]},
    install_requires=install_requires,
    extras_require=extras_require,
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Intended Audience :: Information Technology",
        "License :: OSI Approved :: Apache Software License",
        "Topic :: System :: Filesystems",
    ],
    python_requires=">=3.8",
)
