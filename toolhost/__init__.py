# toolhost: tool execution host for LLM agents
