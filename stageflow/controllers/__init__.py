"""
Controllers - HTTP routers, thin wrappers over the service layer
"""
