from shared.rabbitmq import RabbitPublisher

publisher = RabbitPublisher("access-service")
