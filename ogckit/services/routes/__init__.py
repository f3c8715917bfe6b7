"""Namespace for HTTP route handlers; it holds no modules yet."""