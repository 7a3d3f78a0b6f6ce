from setuptools import setup, find_packages
from pathlib import Path

setup(
    name="microgel_annotator",
    version=Path("./microgel_annotator/VERSION").read_text().strip(),
    packages=find_packages(include=["microgel_annotator", "microgel_annotator.*"]),
    package_data={"microgel_annotator": ["VERSION"]},
    install_requires=[
        "numpy",
        "easydict",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "microgel_annotator=microgel_annotator.cli:main",
        ],
    },
)
