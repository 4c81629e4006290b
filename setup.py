"""Setup configuration for the nchat UDP group chat."""

from setuptools import setup, find_packages

setup(
    name="nchat",
    version="0.1.0",
    description="A minimal real-time UDP group chat server and terminal client",
    author="nchat developers",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.8",
    install_requires=[
        "textual>=0.47.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "nchat-server=nchat.server.main:main",
            "nchat-client=nchat.client.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
