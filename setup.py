from setuptools import setup, find_packages

setup(
    name="curve-calibration-engine",
    version="0.1.0",
    description="Yield curve calibration and contract valuation engine",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
    ],
    extras_require={"test": ["pytest"]},
    python_requires=">=3.8",
)
