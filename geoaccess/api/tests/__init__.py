"""GEOACCESS API Tests"""
