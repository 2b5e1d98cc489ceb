from setuptools import setup, find_packages
setup(
    name="s2range_store",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=["numpy", "zstandard"],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["s2range = s2range_store.cli:main"]},
    python_requires=">=3.10",
)
