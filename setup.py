"""
Setup script for the companion-matches package.

Installs the companion_matches daemon library (match summaries,
timelines and stale match recovery for gamepacks) from src/.
"""

from setuptools import setup, find_packages

setup(
    name="companion-matches",
    version="1.0.0",
    description="Match lifecycle store and stale match recovery for companion gamepacks",
    author="Course Staff",
    license="Proprietary",
    python_requires=">=3.10",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "python-dotenv>=1.0.0",
        "pydantic>=2.5.0",
        "typing_extensions>=4.6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "build",
            "wheel",
        ],
    },
    # Ship the SQLite schema next to the store code
    package_data={
        "companion_matches": ["_store/schema.sql"],
    },
    entry_points={
        "console_scripts": [
            "companion-matches=companion_matches.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
