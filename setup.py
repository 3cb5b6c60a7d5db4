from setuptools import setup, find_packages

setup(
    name="surgical-editor",
    version="0.1.0",
    packages=find_packages(exclude=("tests", "tests.*")),
    python_requires=">=3.10",
    install_requires=[
        "pyyaml",
        # Syntax-tree provider
        "tree-sitter>=0.22",
        "tree-sitter-python",
        "tree-sitter-javascript",
        "tree-sitter-typescript",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "surgical-edit=surgical_editor.cli:main",
        ],
    },
    author="Uday Kanth",
    description="Surgical source edits: unified diffs, line ranges and syntax-tree transforms.",
)
