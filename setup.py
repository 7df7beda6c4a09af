from setuptools import setup, find_packages

setup(
    name             = "investment-analytics-engine",
    version          = "1.0.0",
    description      = "Bond duration/convexity analytics and Monte Carlo return simulation",
    packages         = find_packages(include=["src", "src.*"]),
    py_modules       = ["main"],
    python_requires  = ">=3.9",
    install_requires = [
        "numpy>=1.24.0",
        "pandas>=2.0.0",
        "scipy>=1.10.0",
    ],
    extras_require   = {
        "test": ["pytest>=7.0"],
    },
    entry_points     = {
        "console_scripts": ["invest-engine = main:main"]
    },
    classifiers      = [
        "Programming Language :: Python :: 3",
        "Topic :: Office/Business :: Financial",
        "Topic :: Scientific/Engineering :: Mathematics",
    ],
)
