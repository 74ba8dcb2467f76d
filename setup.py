from setuptools import setup

with open('README.md', 'r') as f:
    readme = f.read()


with open('requirements.txt', 'r') as f:
    requirements = f.read()


setup(
    name='turbolearn',
    version='0.1.0',
    description='Sparse linear models, averaged online training and '
                'constrained labeling decoders for structured prediction',
    long_description=readme,
    license='LGPL',
    packages=['turbolearn', 'turbolearn.classifier', 'turbolearn.labeler'],
    install_requires=requirements,
    extras_require={'test': ['pytest']}
)
