"""Setup script for the homefaerie package."""

from setuptools import find_packages, setup

setup(
    name="homefaerie",
    version="0.1.0",
    description="Price-driven heater control over MQTT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pymysql",
        "pyyaml",
        "python-dotenv",
        "paho-mqtt>=2.0.0",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-asyncio",
            "black",
            "isort",
            "mypy",
        ],
    },
    entry_points={
        "console_scripts": [
            "homefaerie-heating-manager=homefaerie.heating_manager:main",
        ],
    },
)
