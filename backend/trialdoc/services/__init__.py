"""
TrialDoc Backend - Services Layer
===================================

Service Inventory:
    - AuthService: registration and login, retried through the ConnectionManager
    - DocumentService: document CRUD on the request's session
    - LLMService (abstract) / ClaudeService: completion provider over httpx
    - AnalysisService: prompts, completion, response normalization
    - response_parser / prompts: pure helpers used by AnalysisService
"""
