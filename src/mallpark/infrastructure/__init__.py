"""Infrastructure layer: configuration, storage, messaging, factories"""
