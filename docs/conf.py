# Sphinx configuration file

import os
import sys
sys.path.insert(0, os.path.abspath('../src'))

from certflow import __version__  # noqa: E402

project = 'certflow'
copyright = '2026, certflow contributors'
author = 'certflow contributors'
release = __version__
version = '.'.join(__version__.split('.')[:2])

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.napoleon',
    'sphinx.ext.viewcode',
    'sphinx.ext.intersphinx',
    'sphinx_autodoc_typehints',
]

templates_path = ['_templates']
exclude_patterns = ['_build', 'Thumbs.db', '.DS_Store']

html_theme = 'sphinx_rtd_theme'
html_static_path = ['_static']
html_title = f'certflow {release}'

# The API docs only need the workflow model; the server stack is optional.
autodoc_mock_imports = ['fastapi', 'starlette']

autodoc_default_options = {
    'members': True,
    'member-order': 'bysource',
    'undoc-members': True,
    'exclude-members': '__weakref__, model_config, model_fields, model_computed_fields',
}
autodoc_class_signature = 'separated'
typehints_defaults = 'comma'

# Google style only
napoleon_google_docstring = True
napoleon_numpy_docstring = False

intersphinx_mapping = {
    'python': ('https://docs.python.org/3', None),
    'requests': ('https://requests.readthedocs.io/en/latest', None),
    'pydantic': ('https://docs.pydantic.dev/latest', None),
}
