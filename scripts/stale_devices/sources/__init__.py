"""Backends the audit reads from: Active Directory and Entra ID."""
