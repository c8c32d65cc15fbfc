"""Stale computer account audit.

Collects Active Directory computer accounts that have not changed since a
cutoff, reconciles them by name against Entra ID device sign-in activity and
exports the accounts with no confirmed recent cloud activity.
"""
