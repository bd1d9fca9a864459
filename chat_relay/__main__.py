from chat_relay.api.service import main

if __name__ == "__main__":
    main()
