"""Core services: credentials, projects, sessions, security logs and lifecycle cascades"""
