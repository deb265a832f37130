"""
Harvest Intake - QR Registration Service

FastAPI service that receives flower-harvest registrations from scanned QR
codes, checks them against previously stored rows and writes them to Postgres
and/or a Google Sheet.
"""

__version__ = "0.1.0"
