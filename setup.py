#!/usr/bin/env python3
"""
Setup configuration for tune-sync
Mirror an iTunes / Music library as a flat folder of AAC files and M3U playlists
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "mutagen>=1.47.0",
    "ffmpeg-python>=0.2.0",
    "Pillow>=10.0.0",
    "click>=8.1.7",
    "rich-click>=1.7.0",
    "rich>=13.0.0",
    "pyyaml>=6.0.1",
    "tqdm>=4.66.1",
    "colorama>=0.4.6",
    "python-dotenv>=1.0.0",
]

setup(
    name="tune-sync",
    version="0.1.0",
    author="tune-sync Team",
    description="Sync an iTunes / Music library to a flat folder of M4A files with M3U playlists",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=("tests", "tests.*")),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio :: Conversion",
    ],
    python_requires=">=3.10",
    install_requires=core_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "black>=23.11.0",
            "flake8>=6.1.0",
            "mypy>=1.7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "tunesync=tune_sync.cli:main",
        ],
    },
    include_package_data=True,
    keywords="itunes music library sync m4a aac m3u playlist ffmpeg",
)
