"""
Request handling for the console.

Controllers take what they need from the request, and return the response
data, a status code, and headers. They do not build responses themselves.
"""

from typing import Tuple

ResponseData = Tuple[dict, int, dict]
