from flask import current_app

def rental_service():
    return current_app.extensions["rental_service"]

def dashboard_aggregator():
    return current_app.extensions["dashboard"]
