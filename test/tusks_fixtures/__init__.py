"""
Trees discovered by Scope.include() in the scopes tests.
"""
