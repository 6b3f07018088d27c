from setuptools import setup, find_packages
from codecs import open
from os import path

VERSION = '0.3.0'

here = path.abspath(path.dirname(__file__))

# Get the long description from the README file
with open(path.join(here, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='cache-stats',
    version=VERSION,
    description='Statistics and category eviction for cache entries held in Redis-compatible key-value stores',
    long_description=long_description,
    long_description_content_type='text/markdown',
    license='BSD',
    classifiers=[
      'Development Status :: 3 - Alpha',
      'Intended Audience :: Developers',
      'Programming Language :: Python :: 3',
    ],
    keywords='cache redis kvrocks upstash statistics',
    packages=find_packages(exclude=['tests*', 'examples*']),
    include_package_data=True,
    python_requires='>=3.10',
    install_requires=[
        'pandas>=1.5.0',
        'redis>=5.0.1',
        'tenacity>=8.0.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0.0',
            'pytest-asyncio>=0.21.0',
        ],
    },
)
