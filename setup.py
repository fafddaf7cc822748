from setuptools import setup, find_packages

setup(
    name="latex_assist",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "requests",
        "pyyaml",
        "textual",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "latex-assist=latex_assist.cli:main",
        ],
    },
    description="AI edit suggestions (latex-diff parsing and application) for a LaTeX editor.",
)
