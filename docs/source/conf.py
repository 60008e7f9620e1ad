# Sphinx configuration for the Dromos documentation.

# -- Path setup --------------------------------------------------------------
import os
import sys
sys.path.insert(0, os.path.abspath('../../src'))
# JAX wheels are heavy to install on documentation builders
autodoc_mock_imports = ['jax']

# -- Project information -----------------------------------------------------
project = 'Dromos'
copyright = '2026, Dromos developers'
author = 'Dromos developers'
release = '0.1.0'

# -- General configuration ---------------------------------------------------
extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.napoleon',      # NumPy-style docstrings
    'sphinx.ext.autosummary',
    'sphinx.ext.intersphinx',   # Links to numpy/scipy/pandas classes
    'sphinx.ext.mathjax',
    'myst_parser',
]

autosummary_generate = True
autodoc_member_order = 'bysource'
autodoc_typehints = 'description'
napoleon_numpy_docstring = True
napoleon_google_docstring = False

intersphinx_mapping = {
    'python': ('https://docs.python.org/3', None),
    'numpy': ('https://numpy.org/doc/stable', None),
    'scipy': ('https://docs.scipy.org/doc/scipy', None),
    'pandas': ('https://pandas.pydata.org/docs', None),
}

templates_path = ['_templates']
exclude_patterns = []

# -- Options for HTML output -------------------------------------------------
html_theme = 'sphinx_rtd_theme'
html_static_path = ['_static']
