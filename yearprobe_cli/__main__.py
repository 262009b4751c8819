from yearprobe_cli.research_cmd import main

if __name__ == "__main__":
    main()
