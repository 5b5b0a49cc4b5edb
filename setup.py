from setuptools import setup, find_packages
import os.path

# Get the long description from the relevant file
__here__ = os.path.dirname(os.path.realpath(__file__))
with open(os.path.join(__here__, 'README.rst'), 'r') as f:
    long_description = f.read()

setup(
    name='costbasis',
    version='0.1.0dev',

    description='FIFO tax lot accounting and realized gains from a transaction ledger',
    long_description=long_description,

    license='MIT',

    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Intended Audience :: Financial and Insurance Industry',
        'Topic :: Software Development :: Libraries :: Python Modules',
        'Topic :: Office/Business :: Financial :: Accounting',
        'Topic :: Office/Business :: Financial :: Investment',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Natural Language :: English',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
    ],

    keywords=['tax', 'investment', 'cost basis', 'tax lots', 'FIFO'],

    packages=find_packages(exclude=['tests']),

    python_requires='>=3.9',

    install_requires=[
        'sqlalchemy >= 2.0.0',
        'alembic >= 1.0.0',
    ],

    extras_require={
        'postgres': ['psycopg2-binary'],
        'test': ['pytest'],
    },

    entry_points={
        'console_scripts': [
            'costbasis=costbasis.script:main',
        ],
    },
)
