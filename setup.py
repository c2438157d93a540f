from setuptools import find_packages, setup

setup( name='VimeTileServices',
       version='0.1',
       description='Multiscale tile-stack access for VIME volumes',
       packages=find_packages(exclude=('unit_tests',)),
       python_requires='>=3.8',
       install_requires=[
           'numpy',
           'jsonschema',
           'ruamel.yaml',
           'Pillow',
           'httpx',
       ],
       extras_require={
           'test': ['pytest'],
       },
       entry_points={
          'console_scripts': [
              'vime-tiles = VimeTileServices.cli:main',
          ]
       }
     )
