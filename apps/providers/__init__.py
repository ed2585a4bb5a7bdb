"""Providers app package.

Car-wash providers, the services they offer and their operating calendar
(weekly opening hours plus dated overrides such as holidays or custom
hours). The scheduling engine reads this data but never writes it.
"""
