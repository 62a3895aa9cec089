import re

from setuptools import setup, find_packages

# read the version without importing the package and its dependencies
with open('kdbxenvelope/version.py') as f:
    version = re.search(r"__version__ = '([^']+)'", f.read()).group(1)

setup(
    name='kdbxenvelope',
    version=version,
    packages=find_packages(exclude=['tests']),
    description="Decode the unencrypted header envelope of Keepass KDBX3 and KDBX4 files",
    long_description=open('README.rst').read(),
    license="GPLv3",
    keywords="keepass kdbx header parser",
    python_requires='>=3.7',
    install_requires=[
        "construct",
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': ['kdbx-envelope=kdbxenvelope.cli:main'],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
    ]
)
