"""Setup script for the XDT Mini Client MCP Server."""

from setuptools import setup, find_packages
import os

# Read the README file
def read_readme():
    readme_path = os.path.join(os.path.dirname(__file__), 'README.md')
    if os.path.exists(readme_path):
        with open(readme_path, 'r', encoding='utf-8') as f:
            return f.read()
    return "XDT Mini Client MCP Server - MCP tools for the XDT mini client and its item catalog"

setup(
    name='xdt-mini-client-mcp',
    version='0.1.0',
    description='MCP (Model Context Protocol) server that relays commands to the XDT mini client',
    long_description=read_readme(),
    long_description_content_type='text/markdown',
    author='XDT Mini Client Team',
    author_email='dev@example.com',

    packages=find_packages(include=['xdt_mcp', 'xdt_mcp.*']),
    py_modules=['mcp_xdt_server'],
    python_requires='>=3.11',
    install_requires=[
        'mcp>=1.2.0,<2',
        'pymongo>=4.6.0',
        'requests>=2.31.0',
        'pydantic>=2.0.0',
        'click>=8.1.0',
        'python-dotenv>=1.0.0',
    ],

    extras_require={
        'yaml': ['pyyaml>=6.0'],
        'toml': ['tomli>=2.0.0'],
        'dev': [
            'pytest>=7.4.0',
            'pytest-asyncio>=0.23.0',
            'pytest-cov>=4.1.0',
            'pyyaml>=6.0',
        ],
    },

    entry_points={
        'console_scripts': [
            'xdt-mcp=xdt_mcp.cli:cli',
            'xdt-mcp-server=mcp_xdt_server:main',
        ],
    },

    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ],

    keywords='mcp model-context-protocol mongodb game-tools automation',

    include_package_data=True,
    zip_safe=False,
)
