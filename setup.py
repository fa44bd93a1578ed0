from setuptools import find_packages, setup

setup(
    name='sectionorder',
    version='1.0.0',
    description='Drag-and-drop subject ordering for class sections',
    packages=find_packages(include=['sectionorder', 'sectionorder.*']),
    python_requires='>=3.8',
    install_requires=[
        'textual>=0.47',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'sectionorder=sectionorder.tui:main',
        ],
    },
)
