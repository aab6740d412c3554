"""
CLI - Command-line interface for AdCompliance
"""
