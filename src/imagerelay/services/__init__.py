"""Services package for imagerelay."""
