#!/usr/bin/env python

from setuptools import setup, find_packages

long_description = open("README.rst").read()
install_requires = ['numpy>=1.18.5',
                    'quantities>=0.12.1',
                    'tqdm']
extras_require = {
    'test': ['pytest'],
}

with open("plxio/version.py") as fp:
    d = {}
    exec(fp.read(), d)
    plxio_version = d['version']

setup(
    name="plxio",
    version=plxio_version,
    packages=find_packages(include=["plxio", "plxio.*"]),
    install_requires=install_requires,
    extras_require=extras_require,
    description="Decoder for the legacy Plexon .plx electrophysiology "
                "file format: spikes, events and continuous signals",
    long_description=long_description,
    license="BSD-3-Clause",
    python_requires=">=3.8",
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: BSD License',
        'Natural Language :: English',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3 :: Only',
        'Topic :: Scientific/Engineering']
)
