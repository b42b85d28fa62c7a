from setuptools import setup, find_packages


setup(
    name="rgssarc",
    version="0.1.4",
    packages=find_packages(include=["rgssarc", "rgssarc.*"]),
    description="Reader and writer for rgssad/rgss2a/rgss3a game archives.",
    install_requires=[
        "pycryptodomex>=3.23.0",
    ],
    entry_points={
        "console_scripts": [
            "rgssarc=rgssarc.cli:main",
        ]
    },
)
