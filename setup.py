from setuptools import setup, find_packages

setup(
    name="orderdoc",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        # Core dependencies
        "pydantic>=2",

        # Document processing
        "beautifulsoup4",
        "html5lib",
        "requests",
        "pandas",
        "openpyxl",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "orderdoc=orderdoc.cli:main",
        ],
    },
)
