"""
UAV Trim Solver - Setup Script

Install in development mode:
    pip install -e .

Then import anywhere:
    from uav_trim.trim_sim import trim_sim
"""

from setuptools import setup
from pathlib import Path

# Read requirements
requirements_path = Path(__file__).parent / "requirements.txt"
if requirements_path.exists():
    with open(requirements_path, 'r') as f:
        install_requires = [
            line.strip() for line in f
            if line.strip() and not line.startswith('#')
        ]
else:
    install_requires = [
        'numpy>=1.24',
        'scipy>=1.10',
        'matplotlib>=3.7',
        'pyyaml>=6.0',
    ]

setup(
    name="uav-trim",
    version="1.0.0",
    author="Flight Dynamics Team",
    description="Trim-point compiler and equilibrium solver for rigid and aeroelastic UAV models",
    long_description=open("README.md", encoding="utf-8").read() if Path("README.md").exists() else "",
    long_description_content_type="text/markdown",
    # Map the current directory as the uav_trim package
    package_dir={'uav_trim': '.'},
    packages=['uav_trim', 'uav_trim.aero', 'uav_trim.eom', 'uav_trim.trim'],
    package_data={
        '': ['*.yaml', '*.yml'],
    },
    include_package_data=True,
    install_requires=install_requires,
    extras_require={
        'test': ['pytest>=7.0'],
    },
    python_requires=">=3.10",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering :: Physics",
    ],
)
