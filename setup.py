"""
Setup file.
"""

import os

from setuptools import find_packages, setup

URL = "https://github.com/modgraph/modgraph"
KEYWORDS = "build system makefile c c++ compiler linker modules dependency graph"
HERE = os.path.dirname(os.path.abspath(__file__))


if __name__ == "__main__":
    setup(
        name="modgraph",
        version="0.1.0",
        description="Hierarchical module build-graph resolver for C/C++ projects",
        keywords=KEYWORDS,
        url=URL,
        python_requires=">=3.9",
        package_dir={"": "src"},
        packages=find_packages(where="src"),
        install_requires=[
            "psutil",
            "tqdm",
        ],
        extras_require={
            "test": ["pytest"],
        },
        entry_points={
            "console_scripts": [
                "modgraph=modgraph.cli:main",
            ],
        },
        include_package_data=True)
