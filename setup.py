import os
from setuptools import setup

with open(os.path.join(os.path.dirname(os.path.abspath(__file__)), 'README.rst'), 'rb') as f:
    long_description = f.read().decode('utf-8')

setup(
    name='treecalc',
    version='1.0',
    description='Line calculator built on an incrementally rotated expression tree',
    long_description=long_description,
    license='MIT',
    package_dir={'': 'src'},
    py_modules=['treecalc', 'treecalc_cli'],
    entry_points={
        'console_scripts': ['treecalc = treecalc_cli:main'],
        },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Environment :: Console',
        ],
    keywords='calculator expression tree',
)
