"""
Settings, logging setup and the DynamoDB client, shared by `main.py` and `albums/`.
"""
