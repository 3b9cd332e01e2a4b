"""
frontdesk/hotel

Hotel front-desk domain: codecs, stay grouping, rules and services
"""
