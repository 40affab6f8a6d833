"""Domain layer: entities, value objects, allocation and pricing rules"""
