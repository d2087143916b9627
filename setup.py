from setuptools import setup, find_packages

setup(
    name="photo-frame",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "Pillow>=10.1.0",
        "PyYAML>=6.0",
        "requests>=2.28.0",
        "PyQt6>=6.4.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "photo-frame=photo_frame.app:main",
        ],
    },
    python_requires=">=3.10",
)
