"""
Setup configuration for extent-automation-kit pytest plugin
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the contents of README file
this_directory = Path(__file__).parent
long_description = ""
readme_file = this_directory / "README.md"
if readme_file.exists():
    long_description = readme_file.read_text(encoding='utf-8')

setup(
    name="extent-automation-kit",
    version="1.0.0",
    description="Pytest plugin with per-worker Selenium sessions, mitmproxy instrumentation and extent HTML reports",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    package_data={
        'extent_automation_kit': [
            'templates/**/*',
        ],
    },
    classifiers=[
        "Framework :: Pytest",
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Testing",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    install_requires=[
        "pytest>=7.0.0",
        "jinja2>=3.0.0",
        "pandas>=2.0.0",
        "openpyxl>=3.1.0",
        "python-dotenv>=1.0.0",
        "selenium>=4.10.0",
        "psutil>=5.9.0",
    ],
    extras_require={
        "proxy": ["mitmproxy>=10.0.0"],
        "test": ["pytest>=7.0.0", "pytest-xdist>=3.0.0"],
    },
    entry_points={
        "pytest11": [
            "extent-automation-kit = extent_automation_kit.plugin",
        ]
    },
    keywords="pytest selenium extent reporting html test-automation mitmproxy",
)
