"""Locale package for i18n JSON resources.

One nested JSON object per locale code (``zh-CN.json``, ``en-US.json``, ...),
read through importlib.resources so the files are found both from a
checkout and from an installed wheel. ``zh-CN`` is the fallback bundle and
must define every key.
"""
