"""Install the CI console package."""

from setuptools import setup, find_packages

setup(
    name='ciconsole',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    python_requires='>=3.8',
    install_requires=[
        "flask",
        "flask-sqlalchemy>=3.0",
        "sqlalchemy>=1.4",
        "redis>=4.1",
        "pytz",
        "python-dateutil",
        "retry",
        "wtforms>=3.0",
        "authlib",
        "requests",
        "python-json-logger",
    ],
    extras_require={
        'test': [
            "pytest",
            "fakeredis",
            "hypothesis",
        ]
    },
    zip_safe=False
)
