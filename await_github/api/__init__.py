"""Resource-specific GitHub API wrappers read through the ETag cache.

Each module in this package owns:
- the API call for one resource (via GitHubAPIClient)
- the request fingerprint + params used as the ConditionalCache key
- converting the response body into a typed value
"""
