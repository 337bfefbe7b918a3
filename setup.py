"""Packaging for docbridge, a document store client over MongoDB and ArangoDB."""

import re
from pathlib import Path

from setuptools import find_packages, setup

HERE = Path(__file__).parent


def package_metadata(name):
    """Read a dunder attribute such as ``__version__`` from the package."""
    source = (HERE / "docbridge" / "__init__.py").read_text(encoding="utf-8")
    match = re.search(rf'^__{name}__\s*=\s*["\']([^"\']+)["\']', source, re.MULTILINE)
    if match is None:
        raise RuntimeError(f"Unable to find __{name}__ in docbridge/__init__.py")
    return match.group(1)


def requirements(filename="requirements.txt"):
    """Requirement specifiers of a pip requirements file, comments dropped."""
    lines = (HERE / filename).read_text(encoding="utf-8").splitlines()
    return [line.split("#", 1)[0].strip() for line in lines if line.split("#", 1)[0].strip()]


setup(
    name="docbridge",
    version=package_metadata("version"),
    author=package_metadata("author"),
    description=package_metadata("description"),
    long_description=(HERE / "ReadMe.md").read_text(encoding="utf-8"),
    long_description_content_type="text/markdown",
    keywords="mongodb arangodb document-store database client",
    packages=find_packages(include=["docbridge", "docbridge.*"]),
    python_requires=">=3.8",
    install_requires=requirements(),
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "docbridge=docbridge.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Database :: Front-Ends",
    ],
)
