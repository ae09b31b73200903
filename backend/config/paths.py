"""
Centralized path configuration for the catalogue editor
Ensures the record store and the sync subsystem agree on the tracked data files
"""

# Catalogue documents live under this directory of the site repository
DATA_SUBDIR = 'data'

# Repository-relative paths (forward slashes, as git reports them)
BOOKS_REL_PATH = f'{DATA_SUBDIR}/books.json'
CONFIG_REL_PATH = f'{DATA_SUBDIR}/config.json'

# Rotating log file name inside CATALOGUE_LOG_DIR
DEFAULT_LOG_FILENAME = 'catalogue-editor.log'
