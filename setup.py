"""Package setup for tianyi_auto."""

from setuptools import setup, find_packages

setup(
    name="tianyi-auto",
    version="1.0.0",
    description="Scheduled login (and optional reboot) for Tianyi/ZTE and Huawei home routers",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "requests>=2.31.0",
        "urllib3>=2.0.0",
        "colorlog>=6.8.0",
        "croniter>=2.0.0",
        "tzdata>=2024.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "tianyi-auto=tianyi_auto.cli:main",
        ],
    },
)
