from setuptools import setup, find_packages

setup(
    name="imagecatalog",
    version="1.0.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    package_data={"imagecatalog": ["config.yaml"]},
    install_requires=[
        "click>=8.0",
        "requests>=2.25",
        "redis>=4.5",
        "python-dotenv>=1.0",
        "rich>=13.0",
        "shapely>=2.0",
        "flask>=2.0",
        "python-dateutil>=2.8",
        "tenacity>=8.2.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "fakeredis>=2.10",
        ],
    },
    entry_points={
        "console_scripts": [
            "imagecatalog=imagecatalog.cli.app:cli",
        ],
    },
    python_requires=">=3.8",
)
