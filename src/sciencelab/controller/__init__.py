"""
The CONTROLLER layer owns scene lifecycles, render loops and asset loading.
Qt appears only in `workers`; rendering goes through the RenderBackend interface.
"""
