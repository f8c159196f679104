"""Configuration constants for the Wellcome Collection catalogue client."""

import os

# API endpoints
API_BASE_URL = os.getenv(
    'WELLCOME_API_BASE_URL',
    'https://api.wellcomecollection.org/catalogue/v2'
)
CONCEPTS_PATH = 'concepts'
WORKS_PATH = 'works'

# Request parameters
REQUEST_TIMEOUT = 10.0  # seconds
USER_AGENT = 'concept-explorer/0.1 (+https://wellcomecollection.org/concepts)'
DEFAULT_WORKS_PAGE_SIZE = 10

# Concept shown when no id is supplied
DEFAULT_CONCEPT_ID = 'avkn7rq3'
