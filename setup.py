from setuptools import setup, find_packages

setup(
    name="warpbuild",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "rich",
        "requests",
        "python-dotenv",
        "srp",
        "toml",
        "rich-argparse",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "warpbuild=warpbuild.cli:main",
        ],
    },
)
