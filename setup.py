from setuptools import setup, find_packages
import os

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

version = os.environ.get("COPYCOPTER_CLIENT_VERSION", "2.0.0")

setup(
    name="copycopter-client",
    version=version,
    author="Copycopter",
    description="Copycopter Client - keeps application copy in sync with a Copycopter server",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/copycopter/copycopter-python-client",
    project_urls={
        "Source": "https://github.com/copycopter/copycopter-python-client",
        "Issue Tracker": "https://github.com/copycopter/copycopter-python-client/issues",
    },
    packages=find_packages(exclude=["tests", "tests.*", "examples", "examples.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: Implementation :: CPython",
        "Topic :: Software Development :: Internationalization",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Typing :: Typed",
    ],
    keywords=[
        "copycopter",
        "i18n",
        "translations",
        "copy",
        "blurbs",
        "content",
    ],
    python_requires=">=3.8",
    install_requires=[
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "pytest-timeout>=2.0.0",
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
            "flake8>=6.0.0",
        ],
    },
    package_data={
        "copycopter_client": ["py.typed"],
    },
    include_package_data=True,
    zip_safe=False,
)
