"""Hotels app package.

Catalog of the group's hotels and their room types. Room types carry the
inventory figures (total rooms, oversell rate) that availability checks and
pricing read from.
"""
