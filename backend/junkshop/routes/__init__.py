# Overview: Flask blueprints for the JSON API.
