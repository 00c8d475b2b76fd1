from rollout_agent.cli import main

main()
