"""Install the directory authentication gateway package."""

from setuptools import setup, find_packages

setup(
    name='dirauth',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    install_requires=[
        "flask",
        "ldap3",
        "sqlalchemy>=1.4",
        "python-dateutil",
        "python-json-logger",
        "pyjwt>=2",
        "pytz",
        "redis>=4.1",
        "fakeredis",
    ],
    extras_require={
        'test': [
            "pytest",
            "pytest-mock",
        ]
    },
    zip_safe=False
)
