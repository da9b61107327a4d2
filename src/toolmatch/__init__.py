"""Tool Match — a browser-tool recommendation quiz with premium saved results.

Answer five questions, get the catalog ranked by match percentage. Premium
accounts keep every result; free accounts can save on request.
"""

__version__ = "0.1.0"
