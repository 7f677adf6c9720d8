from setuptools import setup, find_packages

setup(
    name='extpublish',
    version='0.1.0',
    description='Publish browser extension releases from GitHub to extension stores',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    python_requires='>=3.10',
    install_requires=[
        'requests',
        'urllib3',
        'PyYAML',
        'platformdirs',
        'rich',
        'PyJWT',
    ],
    extras_require={
        'test': [
            'pytest<9.1',
        ],
    },
    entry_points={
        'console_scripts': [
            'extpublish=extpublish.cli:main',
        ],
    },
)
