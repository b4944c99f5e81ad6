from shared.rabbitmq import RabbitPublisher

publisher = RabbitPublisher("scheduling-service")
