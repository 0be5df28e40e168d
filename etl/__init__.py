# WORKFLOW: ETL package for importing and exporting priced items.
# Used by: Prices API router, offline import/export, bootstrap script
# Modules include:
# 1. ingest_zip.py - Load a ZIP of CSV files into the prices table
# 2. validators.py - Validate and coerce CSV rows
# 3. export_zip.py - Serialize the prices table into a ZIP-wrapped CSV
#
# ETL flow: ZIP of CSV -> Validate -> prices table -> CSV -> ZIP

"""
ETL package for Price Archive API import and export.
"""
