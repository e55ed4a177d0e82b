"""Domain services: credentials, authorization, defects, messaging and photo storage"""
