from setuptools import setup, find_namespace_packages

setup(
    name="nerdctld",
    version="0.6.0",
    description="Docker Engine API daemon backed by nerdctl",
    license="Apache-2.0",
    python_requires=">=3.8",
    packages=find_namespace_packages(where="src", include=["nerdctld", "nerdctld.*"]),
    package_dir={"": "src"},
    install_requires=[
        "pydantic>=2.5",
        "pyyaml>=6.0",
        "click>=8.0",
        "psutil>=5.9",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "nerdctld=nerdctld.CLI.main:main",
        ],
    },
)
