from setuptools import find_namespace_packages, setup

package_name = 'treasure_grid'

setup(
    name=package_name,
    version='0.1.0',
    packages=find_namespace_packages(include=['game', 'game.*'], exclude=['game.tests']),
    python_requires='>=3.10',
    install_requires=['setuptools', 'websockets>=13', 'aiohttp>=3.9'],
    extras_require={
        'test': ['pytest'],
    },
    zip_safe=True,
    description='Multiplayer treasure grid over UDP with reliable commands',
    license='MIT',
    entry_points={
        'console_scripts': [
            'treasure-server = game.server.__main__:main',
            'treasure-client = game.client.__main__:main',
        ],
    },
)
