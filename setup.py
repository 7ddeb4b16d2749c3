#!/usr/bin/env python

from setuptools import setup, find_packages
from os import path

# read the contents of your README file
this_directory = path.abspath(path.dirname(__file__))
with open(path.join(this_directory, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()


setup(
    name='zdcflow',
    packages=find_packages('src'),
    package_dir={'': 'src'},
    version='0.1',
    description='ZDC Q-vector gain equalisation and recentering',
    long_description=long_description,
    long_description_content_type='text/markdown',
    python_requires='>=3.9',
    install_requires=[
        'astropy>=5.0',
        'ctapipe>=0.19',
        'numpy>=1.22',
        'tables>=3.7',
        'tqdm',
    ],
    extras_require={'test': ['pytest']},
    tests_require=['pytest'],
    entry_points={
        'console_scripts': [
            'zdcflow-qvectors=zdcflow.makers.qvector_makers:main',
        ],
    },
)
