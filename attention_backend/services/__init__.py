# Adapters for external collaborators (camera, face detector, storage) and logging
