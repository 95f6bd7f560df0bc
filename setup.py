from setuptools import setup, find_packages

setup(
    name='deppack',
    version='0.1.0',
    py_modules=['deppack', 'pipeline'],
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.9',
    install_requires=[
        'lark',
        'pydantic>=2',
        'python-dotenv',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'deppack = deppack:main',
        ],
    },
)
