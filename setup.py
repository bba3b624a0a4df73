from setuptools import setup, find_packages

'''
Notes: This is the setup file for the SysVital project.
It defines the package metadata and dependencies required for installation.
'''

setup(
    name = "SysVital",
    version = "1.0.0",
    description= "SysVital - System Health Analysis and Optimization Engine",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires='>=3.10',
    install_requires=[
        # Core
        "pydantic>=2",
        "requests",
        "PyYAML",
        "python-dotenv",

        # System
        "psutil",

        # Utils
        "fpdf2",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "sysvital=sysvital.cli:main",
        ],
    },
)
