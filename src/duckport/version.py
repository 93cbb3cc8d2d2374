# src/duckport/version.py
VERSION = "0.3.0"
