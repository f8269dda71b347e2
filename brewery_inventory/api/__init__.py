"""HTTP API - flask-restx namespaces and middlewares"""
