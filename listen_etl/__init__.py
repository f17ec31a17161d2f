"""
Listen Analytics ETL
Bulk-loads track and listen-activity dumps into PostgreSQL and runs a fixed
battery of analytical queries over them
"""

__version__ = '1.0.0'
