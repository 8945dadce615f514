"""Sphinx configuration."""

import os
import sys
sys.path.insert(0, os.path.abspath('../src'))

from tabular_privacy import __version__  # noqa: E402

project = 'Tabular Privacy'
author = 'Tabular Privacy developers'
release = __version__
version = '.'.join(release.split('.')[:2])

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.intersphinx',
    'sphinx.ext.napoleon',
    'sphinx.ext.viewcode',
    'sphinx_autodoc_typehints',
    'myst_parser',
]

templates_path = ['_templates']
exclude_patterns = ['_build', 'Thumbs.db', '.DS_Store']

html_theme = 'sphinx_rtd_theme'
html_show_copyright = False

napoleon_google_docstring = False
napoleon_numpy_docstring = True

autodoc_typehints = 'signature'
autodoc_member_order = 'bysource'
always_document_param_types = False

# Tables, generators and trees in signatures link to their libraries' docs
intersphinx_mapping = {
    'python': ('https://docs.python.org/3', None),
    'numpy': ('https://numpy.org/doc/stable/', None),
    'pandas': ('https://pandas.pydata.org/docs/', None),
    'treelib': ('https://treelib.readthedocs.io/en/latest/', None),
}
