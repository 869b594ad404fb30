"""depot — one file-storage contract over local disk and S3."""
