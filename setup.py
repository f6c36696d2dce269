"""Setup for Prompt Builder."""

from setuptools import setup, find_namespace_packages

setup(
    name="prompt-builder",
    version="0.1.0",
    description="Structured prompt composer with Markdown, JSON, YAML and SMILE export",
    author="The Kitchen Coder",
    packages=find_namespace_packages(include=["prompt_builder", "prompt_builder.*"]),
    install_requires=[
        "gradio>=6.0.0",
        "openai>=1.0.0",
        "pydantic>=2.0.0",
        "pyyaml>=6.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "httpx>=0.23.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "prompt-builder=prompt_builder.app:main",
        ],
    },
    python_requires=">=3.9",
)
