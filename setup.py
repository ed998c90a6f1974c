from setuptools import setup


def readme():
    with open('README.rst') as f:
        return f.read()


setup(
    name='mat5io',
    version='0.7.0',
    author='Jacob Svensson',
    author_email='jacob@nephics.com',
    packages=['mat5io'],
    license='MIT License',
    description='Read and write arrays in the Matlab (TM) level 5 '
                'MAT-file format.',
    long_description=readme(),
    python_requires='>=3.6',
    classifiers=[
        'Development Status :: 4 - Beta',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Topic :: Scientific/Engineering'
    ]
)
