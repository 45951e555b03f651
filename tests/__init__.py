"""Test suite for PreOpen-Archiver.

Tests mirror the src/ package modules. Playwright pages and the boto3
client are mocked; every run executes without a browser or network.
"""
