# catalogue_detection/utils/__init__.py
