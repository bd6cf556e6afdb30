from pathlib import Path

from setuptools import find_packages, setup

version = (Path(__file__).parent / "asynchttpclient/VERSION").read_text("ascii").strip()


install_requires = [
    "Twisted>=21.7.0",
    "w3lib>=1.17.0",
    "zope.interface>=5.1.0",
]
extras_require = {
    "test": ["pytest"],
}


setup(
    name="asynchttpclient",
    version=version,
    description="One-shot asynchronous HTTP/1.1 requests on the Twisted reactor",
    long_description=open("README.rst", encoding="utf-8").read(),
    license="BSD",
    packages=find_packages(exclude=("tests", "tests.*")),
    package_data={"asynchttpclient": ["VERSION"]},
    include_package_data=True,
    zip_safe=False,
    entry_points={"console_scripts": ["asynchttp = asynchttpclient.cmdline:execute"]},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Framework :: Twisted",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: BSD License",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    python_requires=">=3.9",
    install_requires=install_requires,
    extras_require=extras_require,
)
