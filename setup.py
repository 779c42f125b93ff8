import setuptools

setuptools.setup(
    name="dicehist",
    version="0.1.0",
    classifiers=["Programming Language :: Python :: 3"],
    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    package_data={"dicehist": ["notation.lark", "settings.default.yaml"]},
    python_requires=">=3.8",
    entry_points={"console_scripts": ["dicehist=dicehist.__main__:main"]},
    install_requires=["lark>=1.1", "pyyaml", "pandas"],
    extras_require={"test": ["pytest"]},
)
