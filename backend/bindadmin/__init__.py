"""BIND control plane: named.conf lifecycle service"""
