from pathlib import Path

from setuptools import find_packages
from setuptools import setup


HERE = Path(__file__).resolve().parent


def get_long_description():
    readme = HERE / "README.md"
    if readme.exists():
        return readme.read_text(encoding="utf-8")
    return ""


setup(
    name="clientmetrics",
    version="6.0.6",
    description="Correlates UI events into traces and sends them in batches to a beacon",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    license="MIT",
    packages=find_packages(include=["clientmetrics", "clientmetrics.*"]),
    python_requires=">=3.8",
    install_requires=[
        "attrs>=20",
        "envier~=0.6",
    ],
    extras_require={
        "test": [
            "pytest",
            "mock",
            "hypothesis",
        ],
    },
    zip_safe=False,
    classifiers=[
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
    ],
)
