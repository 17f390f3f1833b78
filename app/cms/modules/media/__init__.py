"""
Media library: uploads (stored through app.cms.storage) or externally hosted
file metadata. Deletes are limited to the uploading user.
"""
