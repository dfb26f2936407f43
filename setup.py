from setuptools import setup, find_packages

setup(
    name="factom",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["main"],
    install_requires=[
        "pynacl>=1.5",
        "base58>=2.1",
        "mnemonic>=0.20",
        "bip_utils>=2.7",
        "requests>=2.28",
        "fastapi>=0.100",
        "uvicorn>=0.23",
    ],
    extras_require={
        "test": [
            "httpx",  # fastapi.testclient
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "factom-walletd=main:main",
        ],
    },
    python_requires=">=3.8",
)
