"""
clinicslots - appointment availability and distribution engine for clinics.
"""

__version__ = "0.1.0"
