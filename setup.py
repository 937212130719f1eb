import os
from setuptools import setup, find_packages

NAME = "VolumeAccountingScripts"
VERSION = "0.1"

this_directory = os.path.abspath(os.path.dirname(__file__))
readme_path = os.path.join(this_directory, "README.md")
try:
    with open(readme_path, encoding="utf-8") as f:
        long_description = f.read()
except FileNotFoundError:
    long_description = "Allocation, decline curve and reconciliation calculators for hydrocarbon volume accounting."

install_requires = [
    "numpy>=1.23",
    "pandas>=1.5",
    "scipy>=1.10",
    "PyYAML>=6.0",
]

extras_api = [
    "fastapi>=0.100",
    "pydantic>=2.0",
    "uvicorn>=0.23",
]

extras_test = [
    "pytest>=7.0",
    "httpx>=0.24",
]

extras = {
    "api": extras_api,
    "test": sorted(set(extras_test + extras_api)),
}

extras["all"] = sorted({pkg for group in extras.values() for pkg in group})

setup(
    name=NAME,
    version=VERSION,
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"config": ["*.yaml"]},
    python_requires='>=3.10',
    install_requires=install_requires,
    extras_require=extras,
    include_package_data=True,
    zip_safe=False,
    entry_points={"console_scripts": ["volume-accounting-api=api.main:run"]},
    description='Well allocation, Arps decline forecasting and period reconciliation utilities for production volume accounting.',
    long_description=long_description,
    long_description_content_type="text/markdown",
    license='MIT',
)
