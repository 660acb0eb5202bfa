"""
API request and response schemas, one module per route family.

Money values are integer cents; dates are ISO-8601.
"""
