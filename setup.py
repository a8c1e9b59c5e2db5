from setuptools import setup

setup(
    name='sun-events',
    version='1.0.0',
    author='Samuel Bear Powell',
    description='Solar noon, sunrise, sunset and part of day from the NOAA solar position approximation',
    py_modules=['sunevents'],
    install_requires=['numpy >= 1.19.4'],
    extras_require={'test': ['pytest', 'pytz']},
)
