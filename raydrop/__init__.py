"""
RayDrop - author test case drafts and import them to Xray Cloud.
"""
__version__ = "1.0.0"
