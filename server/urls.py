"""
URL configuration for server project.

The catalog is populated by the `import_programs` management command and
read by external services; this project exposes no views of its own.
"""
urlpatterns = []
