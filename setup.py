from setuptools import setup

__version__ = "1.0.0"
__author__ = "Maxime Lamothe-Brassard ( Refraction Point, Inc )"
__author_email__ = "maxime@refractionpoint.com"
__license__ = "Apache v2"
__copyright__ = "Copyright (c) 2020 Refraction Point, Inc"

setup( name = 'oauthbridge',
       version = __version__,
       description = 'OAuth flow registry and loopback callback listener for desktop applications',
       author = __author__,
       author_email = __author_email__,
       license = __license__,
       packages = [ 'oauthbridge' ],
       zip_safe = True,
       python_requires = '>=3.8',
       install_requires = [ 'pyyaml', 'orjson', 'tabulate', 'termcolor', 'pygments' ],
       extras_require = {
           'test': [ 'pytest', 'requests' ],
       },
       long_description = 'Tracks in-flight OAuth authorization flows and captures the provider redirect on a local port for a desktop application frontend.',
       entry_points = {
           'console_scripts': [
               'oauthbridge=oauthbridge.__main__:main',
           ],
       },
)
