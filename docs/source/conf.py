# Configuration file for the Sphinx documentation builder.

import os
import re
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..')))

# -- Project information -----------------------------------------------------

project = "zkcheck"
copyright = "2025, zkcheck developers"
author = "zkcheck developers"

# Read version from pyproject.toml
pyproject_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), '..', 'pyproject.toml')
with open(pyproject_path, 'r') as f:
    content = f.read()
    version_match = re.search(r'^version = ["\']([^"\']+)["\']', content, re.MULTILINE)
    if version_match:
        release = version_match.group(1)
    else:
        release = "0.3.0"

# General configuration
extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.napoleon',
    'sphinx.ext.viewcode',
]

autodoc_mock_imports = ['z3']

templates_path = ['_templates']
exclude_patterns = []

# HTML output options
html_theme = 'sphinx_rtd_theme'
html_title = 'zkcheck Documentation'
