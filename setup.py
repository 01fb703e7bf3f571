"""
Setup file.
"""

from pathlib import Path

from setuptools import find_packages, setup

URL = "https://github.com/zackees/instances"
KEYWORDS = "subprocess process instance output capture wait kill"
HERE = Path(__file__).parent
VERSION = "1.0.0"


if __name__ == "__main__":
    setup(
        name="instances",
        version=VERSION,
        description="Launch a child process, capture its output line by line and wait for it safely.",
        maintainer="Zachary Vorhies",
        keywords=KEYWORDS,
        url=URL,
        python_requires=">=3.10",
        package_dir={"": "src"},
        packages=find_packages(where="src"),
        install_requires=["psutil"],
        extras_require={"test": ["pytest"]},
        include_package_data=True)
