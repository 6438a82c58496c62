"""
python -m build
twine upload dist/*
"""

from setuptools import setup, find_packages


def jadoc_setup():
    with open("requirements.txt", "rt") as fp:
        install_requires = fp.read().strip().split("\n")

    version = "0.3.0"

    setup(
        name="jadoc",
        packages=find_packages(exclude=["tests", "tests.*"]),
        version=version,
        license="MIT",
        description="jadoc : JSON:API resource dispatch and document core",
        long_description=open("README.rst").read(),
        keywords=["Flask", "REST", "JsonAPI", "SqlAlchemy"],
        python_requires=">=3.9, <4",
        install_requires=install_requires,
        classifiers=[
            "Development Status :: 3 - Alpha",
            "Intended Audience :: Developers",
            "Framework :: Flask",
            "Topic :: Software Development :: Libraries",
            "Environment :: Web Environment",
            "Programming Language :: Python :: 3.12",
            "Programming Language :: Python :: 3.11",
            "Programming Language :: Python :: 3.10",
            "Programming Language :: Python :: 3.9",
        ],
        extras_require={"test": ["pytest>=7"]},
    )


jadoc_setup()  # pragma: no cover
