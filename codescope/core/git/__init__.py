from .fetcher import CloneResult, GitCredentials, RepositoryFetcher, derive_project_name

__all__ = ["CloneResult", "GitCredentials", "RepositoryFetcher", "derive_project_name"]
