#
# setup.py: arena_tools package setup file
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# NOTE: before making new arena_tools package release,
# increment the version number in `arena_tools/_version.py`
#


from setuptools import setup, find_packages
from pathlib import Path

root_path = Path(__file__).resolve().parent

# get version
exec(open(root_path / "arena_tools/_version.py").read())

# load README.md
readme = open(root_path / "README.md", encoding="utf-8").read()

setup(
    name="arena_tools",
    version=__version__,  # noqa
    description="Zone geometry and trajectory analytics for animal-tracking behavior experiments",
    author="DeGirum",
    license="MIT",
    long_description=readme,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["arena_tools", "arena_tools.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
    ],
    install_requires=[
        line.strip()
        for line in open(root_path / "requirements.txt")
        if line.strip() and not line.startswith("#")
    ],
    python_requires=">=3.8",
    # extras
    extras_require={
        # linters for CI/CD
        "linting": [
            "black",
            "mypy",
            "flake8",
            "pre-commit",
            "types-PyYAML",
            "pandas-stubs",
        ],
        # testing for CI/CD
        "testing": ["pytest", "coverage"],
        # building for CI/CD
        "build": ["build"],
    },
    include_package_data=True,
)
