"""
Operations layer: invocation-scoped functions shared by the serverless
handlers and the CLI.

Modules
-------
context     OperationContext (settings + statement client per invocation)
result      OperationResult envelope
database    reset / migrate / plan
users       raw-SQL User operations and transactional demos
handlers    (event, context) -> {"statusCode", "body"} entry points
"""
